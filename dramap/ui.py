from sys import stdout, stderr # to define where to write output
from colorama import Fore, Style # for colored messages
from itertools import zip_longest # to print columns of different lengths

class UI:
    ############################################################
    #### CONSTANT VALUES
    level_name_hpad = 9 # space needed to print any level name
    il = 0 # indentation level
    iw = 4 # indentation width
    ind = '' # the actual indentation string

    @classmethod
    def __color_msg(cls, msg='', pre='', indent=True, msg_color=Fore.RESET,
                    end='\n', out=stdout):
        """Message layout:
            <indent><PRE>: <msg><end>
        Every line of a multi-line message is indented to the current
        indentation level."""
        ind_str = cls.ind if indent and len(msg) > 0 else ''

        if len(msg) > 0 and len(pre) > 0:
            pre = f'{Style.BRIGHT}{pre}{Style.NORMAL}: '

        msg = f'\n{cls.ind}'.join(msg.split('\n'))

        print(f'{msg_color}{ind_str}{pre}{msg}{Style.RESET_ALL}',
              file=out, end=end)
        if end != '\n':
            out.flush()
        return

    @staticmethod
    def __stream(out):
        return stdout if out == 'out' else stderr

    @classmethod
    def indent_in(cls, title=''):
        """Increase indentation with a possible title"""
        if title:
            cls.__color_msg(msg=f'{Style.BRIGHT}{title}{Style.NORMAL}',
                            msg_color=Fore.GREEN, out=stdout)
        cls.il += 1
        cls.ind = ' ' * (cls.il*cls.iw)
        return

    @classmethod
    def indent_out(cls):
        cls.il = max(cls.il - 1, 0)
        cls.ind = ' ' * (cls.il*cls.iw)
        return

    @classmethod
    def indent_set(cls, ind=0):
        cls.il = max(ind, 0)
        cls.ind = ' ' * (cls.il*cls.iw)
        return

    @classmethod
    def error(cls, msg, pre='ERROR', do_exit=True, code=1):
        """print an error message to stderr and, unless told otherwise,
        exit with a non-zero code"""
        cls.__color_msg(msg=msg, pre=pre, msg_color=Fore.RED, out=stderr)
        if do_exit:
            exit(code if code != 0 else 1)
        return

    @classmethod
    def warning(cls, msg, pre='WARNING'):
        cls.__color_msg(msg=msg, pre=pre, msg_color=Fore.YELLOW, out=stderr)
        return

    @classmethod
    def info(cls, msg, pre='INFO', out='err'):
        """print an informative message to (by default) stderr"""
        cls.__color_msg(msg=msg, pre=pre, msg_color=Fore.CYAN,
                        out=cls.__stream(out))
        return

    @classmethod
    def text(cls, msg, indent=True, end='\n', out='out'):
        """print regular text respecting the current indentation level."""
        cls.__color_msg(msg=msg, indent=indent, end=end,
                        out=cls.__stream(out))
        return

    @classmethod
    def nl(cls, out='out'):
        cls.__color_msg(out=cls.__stream(out))
        return

    @classmethod
    def columns(cls, cols, sep='', cols_align='l', header=False,
                get_str=False):
        """Print a table given as a list of columns. Column widths are
        computed from their longest cell. cols_align is either 'l', 'r' or
        one of those letters per column."""
        if len(cols) == 0:
            cls.error('UI.columns: Printing empty array.')

        cols_width = [max([len(str(c)) for c in col], default=0)
                      for col in cols]

        if cols_align in ('l', 'r'):
            cols_align = cols_align * len(cols)
        elif len(cols_align) != len(cols):
            cls.error(f'UI.columns(): got {len(cols)} columns but '
                      f'{len(cols_align)} alignment values.')

        all_lines = []
        for elems in zip_longest(*cols, fillvalue=''):
            line_elems = []
            for i,el in enumerate(elems):
                if cols_align[i] == 'r':
                    line_elems.append(str(el).rjust(cols_width[i]))
                else:
                    line_elems.append(str(el).ljust(cols_width[i]))
            all_lines.append(sep.join(line_elems).rstrip())

        if header and all_lines:
            all_lines[0] = f'{Style.BRIGHT}{all_lines[0]}{Style.NORMAL}'

        table = '\n'.join(all_lines)
        if not get_str:
            cls.__color_msg(msg=table)
        return table
